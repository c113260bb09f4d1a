"""InstaClone: school-restricted photo sharing."""

__version__ = "1.0.0"
