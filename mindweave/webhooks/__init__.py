"""Inbound webhooks (Slack, generic capture)"""
