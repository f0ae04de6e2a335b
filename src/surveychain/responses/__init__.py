"""
Response validation and submission.
"""
