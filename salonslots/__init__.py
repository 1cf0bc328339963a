"""
salonslots - Appointment slot planning and booking validation for salons.
"""

__version__ = "0.1.0"
