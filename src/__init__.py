"""Application Layer.

Infrastructure that feeds the domain layer: DEM readers and other I/O
adapters that return domain Value Objects.
"""
