"""jsonui — streaming UI-tree kernel for model-generated interfaces."""

__version__ = "0.1.0"
