"""LinkedIn post generator"""
