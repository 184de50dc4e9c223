"""
Configuration loading for the vial tracker.
"""
