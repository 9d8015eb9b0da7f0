import numpy as np
import pandapower.networks as pn
import pytest

from network import NETWORK_LOADERS, Branch, Bus, NetworkModel, load_case_file, load_model, load_network
from resilience.errors import NetworkValidationError


def test_validate_accepts_well_formed_model(triangle):
    triangle.validate()


@pytest.mark.parametrize(
    "buses, branches",
    [
        ((Bus(1), Bus(1)), ()),                                  # duplicate id
        ((Bus(1), Bus(2)), (Branch(1, 3, 0.1),)),                # unknown endpoint
        ((Bus(1), Bus(2)), (Branch(1, 2, 0.0),)),                # zero reactance
        ((Bus(1), Bus(2)), (Branch(1, 2, float("inf")),)),       # non-finite reactance
    ],
)
def test_validate_rejects_malformed_models(buses, branches):
    model = NetworkModel(name="bad", buses=buses, branches=branches)
    with pytest.raises(NetworkValidationError):
        model.validate()


def test_bus_position_lookup(triangle):
    assert triangle.bus_position(3) == 2
    with pytest.raises(NetworkValidationError):
        triangle.bus_position(42)


def test_without_branches_uses_original_positions(triangle):
    reduced = triangle.without_branches([0, 2])
    assert reduced.branch_count == 1
    assert reduced.branches[0] == Branch(2, 3, 1.0)
    assert triangle.branch_count == 3


def test_without_branches_rejects_unknown_position(triangle):
    with pytest.raises(NetworkValidationError):
        triangle.without_branches([3])


def test_load_network_rejects_unknown_name():
    with pytest.raises(ValueError):
        load_network("case9999")
    assert "case14" in NETWORK_LOADERS


def test_load_model_builds_named_model_with_case():
    model = load_model("case9")
    assert model.name == "case9"
    assert model.bus_count == 9
    assert model.branch_count == 9
    assert model.case is not None
    model.validate()


def test_load_case_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_case_file(tmp_path / "missing.json")
    bogus = tmp_path / "case.txt"
    bogus.write_text("not a case")
    with pytest.raises(ValueError):
        load_case_file(bogus)


def test_from_pandapower_case14():
    net = pn.case14()
    model = NetworkModel.from_pandapower(net, name="case14")

    assert model.bus_count == len(net.bus)
    assert model.branch_count == int(net.line.in_service.sum() + net.trafo.in_service.sum())
    assert model.bus_ids == [int(i) for i in net.bus.index]
    assert all(b.reactance > 0 and np.isfinite(b.reactance) for b in model.branches)
    assert {b.element for b in model.branches} <= {"line", "trafo"}
    assert model.case is net
    model.validate()


def test_from_pandapower_line_reactance_in_per_unit():
    net = pn.case9()
    model = NetworkModel.from_pandapower(net)
    line = net.line.iloc[0]
    vn_kv = net.bus.at[line.from_bus, "vn_kv"]
    expected = line.x_ohm_per_km * line.length_km / line.parallel / (vn_kv ** 2 / net.sn_mva)
    assert model.branches[0].reactance == pytest.approx(expected)


def test_json_round_trip_through_case_file(tmp_path):
    import pandapower as pp

    path = tmp_path / "case9.json"
    pp.to_json(pn.case9(), str(path))
    net = load_case_file(path)
    assert len(net.bus) == 9


def test_without_branches_takes_elements_out_of_service_in_case_copy():
    net = pn.case9()
    model = NetworkModel.from_pandapower(net)
    reduced = model.without_branches([0])

    idx = model.branches[0].element_index
    assert not reduced.case.line.at[idx, "in_service"]
    assert net.line.at[idx, "in_service"]
