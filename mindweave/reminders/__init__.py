"""Spaced-repetition reminders to revisit saved content"""
