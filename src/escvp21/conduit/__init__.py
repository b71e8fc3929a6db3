"""
Conduits: the byte streams a transport talks to a device over.
"""
