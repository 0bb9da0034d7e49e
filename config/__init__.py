"""
Application configuration: settings models and the layered loader.
"""
