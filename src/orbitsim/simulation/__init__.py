"""
===============================================================================
ORBITSIM - Simulation Module
===============================================================================
Everything that turns single-body physics into a running simulation.

Submodules:
    assets      -- shared visual asset handles and their load status
    templates   -- body blueprints and the stock Earth/satellite pair
    system      -- primary/secondary grouping
    stepper     -- body registry and per-tick update loop
    clock       -- wall-clock frame delta to simulation dt
    diagnostics -- orbital quantities and a solve_ivp reference propagator
===============================================================================
"""
