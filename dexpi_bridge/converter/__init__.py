"""
Conversion core: taxonomy mapping, document building, XML serialization,
parsing of DEXPI 2.0 and Proteus 1.x, graph reconstruction and validation.
"""
