"""Daily highlight"""
