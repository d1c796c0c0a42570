"""
Core utilities: exceptions, error codes, normalization, credential capabilities.
"""
