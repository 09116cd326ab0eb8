"""Building blocks for reading STag fiducial markers and refining their pose."""

__version__ = "0.1.0"