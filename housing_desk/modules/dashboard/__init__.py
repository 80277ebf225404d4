"""
Dashboard Module - Summary counters for staff.
"""
