"""Core domain package for the clipper.

Core contains URL extraction, note naming, status reporting, and the message
pipeline without any Discord, Matrix, browser, or HTTP-specific code, keeping
the business logic portable across chat platforms.
"""
