"""
Plugin Name: Hello Dolly
Version: 1.7
"""

LYRICS = "Hello, Dolly"
