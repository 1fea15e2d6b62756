"""
CATTO Novelty Screener

Case report novelty screening against PubMed with verified model evidence.
"""

__version__ = "0.1.0"

from catto.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
