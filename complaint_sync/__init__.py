"""Real-time complaint synchronization service"""

__version__ = "1.0.0"
