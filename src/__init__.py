"""
Item and folder ordering engine with optimistic persistence.
"""
