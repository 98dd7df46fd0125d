"""
studr - Service Tag UDR reconciler.

Keeps the routes of an Azure route table in step with the published
service tag IP prefix lists, adding, replacing and removing the routes
it generated itself and leaving every other route alone.
"""

__version__ = "0.1.0"
__author__ = "studr maintainers"
