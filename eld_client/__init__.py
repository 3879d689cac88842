"""
ELD trip planner client - resilient API access for the trip routing and
hours-of-service backend.
"""
__version__ = "1.0.0"
