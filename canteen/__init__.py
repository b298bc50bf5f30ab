"""
Canteen meal reservation backend.
"""
