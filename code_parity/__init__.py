"""
code_parity: cross-language semantic parity measurement and refinement.

Extracts a language-neutral model of types and functions from source trees,
scores how closely re-implementations in other languages match a reference
project, and drives an iterative refinement loop until parity converges.
"""

__version__ = "0.3.0"
