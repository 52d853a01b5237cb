"""
Promoter network commission engine.

Onboards customers behind a pin quota and distributes a fixed commission
pool up the promoter hierarchy, with the remainder captured by the
administrative account.
"""

__version__ = "0.1.0"
