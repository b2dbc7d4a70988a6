"""Importers for third-party exports"""
