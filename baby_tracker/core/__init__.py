"""
Core modules for Baby Tracker.

This package contains the pure logic: daily series, today summaries,
display formatting and entry form state.
"""
