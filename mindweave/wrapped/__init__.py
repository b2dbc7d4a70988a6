"""Knowledge Wrapped"""
