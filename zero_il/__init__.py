"""
Zero-IL liquidity strategy for V4 concentrated liquidity pools.

Keeps one managed position plus a one-sided reserve per pool, tracks
impermanent loss against a baseline and compensates it with same-pool swaps.
"""

__version__ = "0.1.0"
