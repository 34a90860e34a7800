"""
Eventbrite attendee sync feature package.

This vertical slice keeps every layer of the attendee reconciliation
co-located (domain models, repositories, services, jobs) so contributors
can navigate the feature without hunting through global folders.
"""
