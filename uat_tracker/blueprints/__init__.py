"""
UAT Tracker
Blueprint registry.
"""
