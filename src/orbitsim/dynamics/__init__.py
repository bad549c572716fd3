"""
===============================================================================
ORBITSIM - Dynamics Module
===============================================================================
Physics of a single primary/secondary pair.

Submodules:
    environment -- exponential atmosphere density model
    forces      -- gravity, drag and their combined acceleration
    body        -- body state, force flags and velocity-Verlet integration
    orientation -- velocity-aligned orientation and primary spin
===============================================================================
"""
