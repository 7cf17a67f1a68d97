"""
MARIE SDK Command-Line Interface
================================

- **mcc**: macro compiler, macro source to MARIE assembly

Implemented with Click.
"""

__all__ = ["mcc"]
