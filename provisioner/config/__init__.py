"""Configuration module for the provisioner."""
from .settings import ProvisionerConfig, load_settings
from .topology import Topology, TopologyError, default_topology, load_topology, resolve_topology
