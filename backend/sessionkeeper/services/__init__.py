"""Domain services: session lifecycle, zone positioning and notifications.

Routes and socket handlers call into these modules, keeping transport
concerns separated from the session rules.
"""
