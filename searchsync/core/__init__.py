"""
Core module

Configuration, enums and search engine storage client
"""
