"""
Plotline: plot outline manager for novel-writing projects.

The server side lives in ``plotline.main`` and ``plotline.api``; the
client tier that drives it lives in ``plotline.client``.
"""

__version__ = "0.1.0"
