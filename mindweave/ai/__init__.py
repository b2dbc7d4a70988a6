"""Gemini-backed helpers: generation prompts, embeddings and clustering"""
