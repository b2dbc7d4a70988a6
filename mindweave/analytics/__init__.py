"""Library analytics and cross-domain connections"""
