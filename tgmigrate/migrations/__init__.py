"""Migration engine for tgmigrate.

Works out which GSQL migration files sit between the version recorded in
the ClientMetadata graph and the version asked for, runs them in order and
records each one back into ClientMetadata.
"""
