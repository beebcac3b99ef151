"""Remote lookups the status engine fans out to.

These modules fetch data from the repository host (GitHub) and the
package registry (npm). Each exposes a Protocol, a real httpx client and
a mock for tests and offline runs.
"""
