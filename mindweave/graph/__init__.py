"""Similarity graphs over a user's library"""
