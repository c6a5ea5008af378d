"""
Girona Neta - API Module
"""
