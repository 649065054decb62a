"""Default configuration template.

This template is written to ~/.config/popfetch/config.toml
when running `popfetch config init`.
"""

CONFIG_TEMPLATE = """\
# popfetch configuration

[defaults]
port = 995
tls = true
timeout = 200
keep = false
maildir = "~/Maildir"

# Add your POP3 accounts below, one table per account.
# The table name is the account name used for locking and reporting.
#
# [accounts.work]
# username = "jdoe"
# password = "secret"
# tlsdomain = "pop.example.com"
#
# Optional per-account settings:
#
# entryserver = "pop-eu.example.com"  # dial this host, validate tlsdomain
# proxyport = "127.0.0.1:9050"       # route through a SOCKS5 proxy
# keep = true                         # leave messages on the server
# maildir = "~/Mail/Work"             # must already contain tmp/ and new/
# active = false                      # skip this account
#
# Fetch all accounts with:
#   popfetch fetch
"""
