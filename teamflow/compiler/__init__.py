"""Translation between team documents and the editor canvas."""

from teamflow.compiler.cleaning import clean_document, clean_node_data
from teamflow.compiler.contractor import GraphContractor
from teamflow.compiler.expander import SOURCE_CONFIG_KEY, ExpansionResult, GraphExpander

__all__ = [
    "ExpansionResult",
    "GraphContractor",
    "GraphExpander",
    "SOURCE_CONFIG_KEY",
    "clean_document",
    "clean_node_data",
]
