"""Family Kinship - genealogical family graphs and kinship inference.

Maintains parentage and spousal edges for a bounded family, merges families
when they unite, and answers "what is B to A?" in natural language.
"""

__version__ = "0.1.0"

# Lazy imports to avoid circular dependencies
def __getattr__(name: str):
    if name == "graph":
        from family_kinship import graph
        return graph
    if name == "kinship":
        from family_kinship import kinship
        return kinship
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
