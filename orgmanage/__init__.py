"""OrgManage — role-based organization management backend."""

__version__ = "1.0.0"
