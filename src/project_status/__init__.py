"""Project status aggregation for a maintenance dashboard.

Fetches repository metadata, CI status, the open issue/PR backlog and
package registry data for each tracked project and merges them into one
flat status record per project.
"""

__version__ = "0.1.0"
