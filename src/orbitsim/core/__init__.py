"""
===============================================================================
ORBITSIM - Core Module
===============================================================================
Foundations shared by every other subpackage.

Submodules:
    constants   -- physical constants and simulation defaults
    vectors     -- 3-D vector helpers on numpy arrays
    quaternion  -- scalar-first unit quaternion
    config      -- SimulationConfig and the YAML loader
    exceptions  -- simulator error kinds
===============================================================================
"""
