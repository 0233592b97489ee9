"""
NuGet Gallery

Query NuGet V2 feeds and aggregate the package references of .NET projects
with their centrally managed versions.
"""

__version__ = "0.1.0"

from .cli import main

__all__ = ["main"]
