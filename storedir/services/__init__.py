"""Business logic services.

Routes stay thin and call into these modules. Domain failures are raised as
StoreDirError subclasses (see errors.py); ownership violations and page
redirects are returned as values.
"""
