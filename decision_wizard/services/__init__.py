"""Generation backend services"""
