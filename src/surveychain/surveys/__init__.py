"""
Survey listing and detail reads.
"""
