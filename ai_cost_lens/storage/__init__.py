"""
Storage for AI Cost Lens.

Session history records and their JSON export format.
"""
