"""Weekly briefing"""
