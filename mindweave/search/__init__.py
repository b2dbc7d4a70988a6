"""Keyword search, question answering and suggestions"""
