"""
Utility modules for dexpi-bridge.
"""
