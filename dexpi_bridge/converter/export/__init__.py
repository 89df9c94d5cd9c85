"""
Graph -> DEXPI process model.
"""

from .graph_to_document import ConvertOptions, ProcessModelBuilder, build_process_model

__all__ = ["ConvertOptions", "ProcessModelBuilder", "build_process_model"]
