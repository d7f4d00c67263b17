"""
Campaigns module.

A campaign is a named frame overlay that becomes public once its one-time
activation payment is confirmed.

Lifecycle:
- pending: created, checkout started, not listed
- approved: paid (webhook) or optimistically approved on the success redirect
- deleted: soft-deleted by an administrator; terminal
"""
