"""techscout: stability-biased technology scouting for software projects."""

__version__ = "0.1.0"
