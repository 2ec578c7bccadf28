"""Resource Allocation package.

Employees are allocated to projects over date ranges, either by hours or by
percentage of monthly capacity. Feature modules (allocations, employees,
settings) follow the same layering: thin Flask controllers on top of
service/repository layers.
"""
