"""
Results aggregation for closed surveys.
"""
