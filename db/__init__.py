"""
Persistence layer: schema and async session management
"""
