"""
Maskstream CLI.
"""
