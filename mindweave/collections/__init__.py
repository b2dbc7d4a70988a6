"""User-defined collections of content items"""
