"""Shared Gemini model and retry policy"""
