"""
Core subsystem models, simulation loop and analysis for the altitude-hold
digital twin.
"""
