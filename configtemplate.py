# Copy this file to config.py and fill it in. The command line tool imports it
# by module name, so pass --config if you called it something else.

# ----------------------- DATABASE ---------------------

# The credentials to log into your PostgreSQL database.
# Please keep this private.
psql_user = ''
psql_pass = ''
psql_host = ''
psql_db = ''

# How long (in seconds) a single command may run before asyncpg gives up.
command_timeout = 60

# ----------------------- SCHEMA ---------------------

# The dialect `sqlblock schema` renders for when --dialect isn't given.
# One of 'postgresql', 'sqlite' or 'mysql'.
dialect = 'postgresql'

# Where the migration scripts and the .revisions file live.
# This is relative to the directory you run the command from.
migrations_directory = 'migrations'
