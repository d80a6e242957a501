"""Outbound webhook delivery.

Endpoints subscribe to event types; every dispatch is signed with the
endpoint's secret, POSTed once and recorded in the delivery log. Retries are
operator-initiated through the admin API.
"""
