"""HTTP API for Mindweave"""
