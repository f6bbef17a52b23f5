"""
Core domain logic: indexing pipeline, retrieval and request splicing.
"""
