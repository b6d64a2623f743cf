"""
Business idea hunter - collects posts from feeds and social platforms,
extracts business ideas with an LLM and stores them in Notion
"""
__version__ = "1.0.0"
