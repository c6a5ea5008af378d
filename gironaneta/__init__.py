"""
Girona Neta - Illegal dump report intake and dispatch
"""

__version__ = "1.0.0"
