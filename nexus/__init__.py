"""
Nexus: startup/investor matchmaking web application.
"""
__version__ = "0.1.0"
