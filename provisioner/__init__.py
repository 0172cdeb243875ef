"""Identity resource provisioning for Microsoft Entra ID."""

__version__ = "1.0.0"
