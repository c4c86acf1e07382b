"""What-if impact analysis over the estate graph."""

from pipeviz_engine.simulation.blast_radius import analyze_blast_radius

__all__ = ["analyze_blast_radius"]
