"""
Foundation layer: data model (boundaries, parameters, fitness, solutions),
services (random source, storage, checkpoints) and the linear constraint
solver shared by the engine.
"""
