"""User records"""
