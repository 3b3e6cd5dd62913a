"""Post-processing of evaluated profiles (tables and plots)."""

from .export import export_profile_csv, export_profile_excel, profile_dataframe
from .plotting import plot_profile

__all__ = ["profile_dataframe", "export_profile_csv", "export_profile_excel", "plot_profile"]
