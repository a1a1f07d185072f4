"""
HTTP surfaces: the editor API and the trigger/LLM collaborator services.
"""
