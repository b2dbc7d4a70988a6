"""Library export"""
