"""Uploaded file storage"""
