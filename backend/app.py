import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

import config
from cascade.simulator import get_default_settings
from network.loaders import NETWORK_LOADERS
from resilience.errors import NetworkValidationError, ScenarioBudgetError, ScenarioIndexError
from resilience.pipeline import assess_resilience

config.configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Grid Resilience API")

# Allow frontend to call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------
#  Constants
# ---------------------

NETWORKS = [
    {"id": "case9",   "label": "IEEE 9-Bus"},
    {"id": "case14",  "label": "IEEE 14-Bus"},
    {"id": "case30",  "label": "IEEE 30-Bus"},
    {"id": "case39",  "label": "IEEE 39-Bus (New England)"},
    {"id": "case57",  "label": "IEEE 57-Bus"},
    {"id": "case118", "label": "IEEE 118-Bus"},
]


# ---------------------
#  Models
# ---------------------

class AssessRequest(BaseModel):
    """Request body for the /assess endpoint."""
    network: str = config.DEFAULT_NETWORK
    fail_min: int = Field(default=config.DEFAULT_FAIL_MIN, ge=0)
    sample_size: int | None = Field(default=config.DEFAULT_SAMPLE_SIZE, ge=0)   # None = exhaustive
    seed: int | None = None
    remove_branches: list[int] = Field(default_factory=list)
    max_loading_percent: float = Field(default=config.MAX_LOADING_PERCENT, gt=0)


# ---------------------
#  GET  /networks
# ---------------------

@app.get("/networks")
def get_networks():
    """Return the list of bundled IEEE test networks for the dropdown."""
    return {"networks": NETWORKS}


# ---------------------
#  POST /assess
# ---------------------

@app.post("/assess")
def run_assess(req: AssessRequest):
    """
    Sample contingency scenarios on the chosen network, run the cascade
    model, and return the resilience report.
    """
    valid_networks = [n["id"] for n in NETWORKS]
    if req.network not in valid_networks or req.network not in NETWORK_LOADERS:
        raise HTTPException(400, f"Unknown network: {req.network}. Choose from {valid_networks}")

    settings = get_default_settings()
    settings.max_loading_percent = req.max_loading_percent

    try:
        report = assess_resilience(
            req.network,
            fail_min=req.fail_min,
            sample_size=req.sample_size,
            seed=req.seed,
            remove_branches=req.remove_branches,
            settings=settings,
        )
    except (NetworkValidationError, ScenarioIndexError) as e:
        raise HTTPException(400, str(e))
    except ScenarioBudgetError as e:
        raise HTTPException(413, str(e))

    return report.to_dict()


# ---------------------
#  Entrypoint
# ---------------------

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True)
