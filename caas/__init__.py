"""CAAS administrative client package.

To use the directory and credential services:
    from caas.core.cordys import CaasSession

To load configuration:
    from caas.config import load_settings
"""

__version__ = "0.1.0"
