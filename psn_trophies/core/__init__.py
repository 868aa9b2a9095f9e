"""Core configuration, logging and shared types"""
