"""Network model and case loaders."""
from .model import Branch, Bus, NetworkModel
from .loaders import NETWORK_LOADERS, load_case_file, load_model, load_network
