"""Unit tests for individual components in isolation.

Coverage:
    - utils/: Path, transform and clip resolvers, grouping and validation
    - processors/: Paint-op walker, shape collector and compositor
    - engine/: Configuration
"""
