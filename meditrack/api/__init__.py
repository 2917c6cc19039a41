"""
HTTP transport for the MediTrack scheduling service.
"""
