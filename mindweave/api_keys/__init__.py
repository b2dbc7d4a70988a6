"""Personal API keys"""
