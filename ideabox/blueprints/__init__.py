"""
IdeaBox
Blueprint registry.
"""
