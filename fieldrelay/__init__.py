"""fieldrelay - GitHub Projects v2 field-change relay"""
__version__ = "0.1.0"
