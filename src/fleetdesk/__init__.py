"""FleetDesk: shipment import backend for the fleet dispatch dashboard."""

__version__ = "1.0.0"
