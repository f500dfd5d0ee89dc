"""
Domain services: route classification (routing) and reasoning strategies (ai).
"""
