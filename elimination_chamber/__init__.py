"""
Elimination Chamber session server
"""
