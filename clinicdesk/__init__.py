"""ClinicDesk API - multi-tenant clinic management backend"""

__version__ = "1.0.0"
