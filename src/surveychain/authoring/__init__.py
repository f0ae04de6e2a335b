"""
Survey creation, question authoring and early closing.
"""
