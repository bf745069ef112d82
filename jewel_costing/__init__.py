"""Product costing and SKU variant codec engine for a jewelry manufacturer."""

__version__ = "0.1.0"
