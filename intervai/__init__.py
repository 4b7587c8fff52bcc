"""
INTERVAI - AI-assisted interview preparation backend.
"""

__version__ = "1.0.0"
