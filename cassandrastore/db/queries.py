"""
The fixed CQL statements used by the stores.

Statements use the driver's named ``%(name)s`` placeholders. The
in-memory client dispatches on these exact strings, so every query the
stores issue must be defined here.
"""

# Session table

SESSION_SELECT = 'SELECT value FROM "session" WHERE type = %(type)s AND key = %(key)s'

SESSION_INSERT = 'INSERT INTO "session" (type, key, value) VALUES (%(type)s, %(key)s, %(value)s)'

SESSION_INSERT_TTL = SESSION_INSERT + ' USING TTL %(ttl)s'

SESSION_DELETE = 'DELETE FROM "session" WHERE type = %(type)s AND key = %(key)s'

# Entities table

ENTITY_COLUMNS = (
    'entityid', 'feed', 'enabled', 'verification', 'metadata', 'uimeta',
    'reg', 'created', 'updated',
)

FEED_COLUMNS = (
    'entityid', 'feed', 'enabled', 'verification', 'metadata', 'uimeta',
    'reg', 'logo_etag', 'created', 'updated',
)

REG_AUTH_COLUMNS = (
    'entityid', 'enabled', 'verification', 'metadata', 'uimeta', 'reg',
    'logo_etag', 'created', 'updated',
)

LOGO_COLUMNS = ('enabled', 'logo', 'logo_updated', 'logo_etag')

ENTITY_SELECT = (
    f'SELECT {", ".join(ENTITY_COLUMNS)} FROM "entities" '
    'WHERE feed = %(feed)s AND entityid = %(entityid)s'
)

LOGO_SELECT = (
    f'SELECT {", ".join(LOGO_COLUMNS)} FROM "entities" '
    'WHERE feed = %(feed)s AND entityid = %(entityid)s'
)

FEED_SELECT = (
    f'SELECT {", ".join(FEED_COLUMNS)} FROM "entities" '
    'WHERE feed = %(feed)s ALLOW FILTERING'
)

REG_AUTH_SELECT = (
    f'SELECT {", ".join(REG_AUTH_COLUMNS)} FROM "entities" '
    'WHERE feed = %(feed)s ALLOW FILTERING'
)

# The write timestamp is taken by the coordinator, not the client.
ENTITY_INSERT_CREATED = (
    'INSERT INTO "entities" (feed, entityid, metadata, uimeta, reg, enabled, created) '
    'VALUES (%(feed)s, %(entityid)s, %(metadata)s, %(uimeta)s, %(reg)s, %(enabled)s, toTimestamp(now()))'
)

ENTITY_INSERT_UPDATED = (
    'INSERT INTO "entities" (feed, entityid, metadata, uimeta, reg, enabled, updated) '
    'VALUES (%(feed)s, %(entityid)s, %(metadata)s, %(uimeta)s, %(reg)s, %(enabled)s, toTimestamp(now()))'
)

ENTITY_SOFT_DELETE = (
    'INSERT INTO "entities" (feed, entityid, enabled, updated) '
    'VALUES (%(feed)s, %(entityid)s, %(enabled)s, toTimestamp(now()))'
)

ENTITY_DELETE = 'DELETE FROM "entities" WHERE feed = %(feed)s AND entityid = %(entityid)s'

# Schema

CREATE_KEYSPACE = (
    'CREATE KEYSPACE IF NOT EXISTS "{keyspace}" WITH REPLICATION = '
    "{{ 'class' : 'SimpleStrategy', 'replication_factor' : {replication_factor} }}"
)

CREATE_SESSION_TABLE = (
    'CREATE TABLE IF NOT EXISTS "session" ('
    'type text, key text, value text, '
    'PRIMARY KEY (type, key))'
)

CREATE_ENTITIES_TABLE = (
    'CREATE TABLE IF NOT EXISTS "entities" ('
    'feed text, entityid text, enabled boolean, verification text, '
    'metadata text, uimeta text, reg text, logo blob, logo_updated timestamp, '
    'logo_etag text, created timestamp, updated timestamp, '
    'PRIMARY KEY (feed, entityid))'
)
