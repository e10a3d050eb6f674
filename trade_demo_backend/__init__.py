"""Trade demo backend: MongoDB client factory and startup configuration."""

__version__ = "0.1.0"
