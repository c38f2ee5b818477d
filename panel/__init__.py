"""
Marketplace Finder control panel package
"""
