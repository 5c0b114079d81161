"""
Realtime arbitration core.

RelayHub is the entry point; the remaining modules are its components.
"""
