"""
HTTP routes for INTERVAI.
"""
