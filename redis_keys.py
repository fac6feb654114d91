REDIS_DOCUMENT_KEY = "document:{document_id}" # hash - {id, data}
REDIS_USER_KEY = "user:{user_id}" # hash - user record
REDIS_USER_EMAIL_KEY = "user:email:{email}" # string - user id, claimed with SET NX
REDIS_USERS_KEY = "users:all" # set of user ids
REDIS_INTERVIEW_KEY = "interview:{interview_id}" # hash - interview record
REDIS_AVAILABLE_INTERVIEWS_KEY = "interviews:available" # set of interview ids still open
REDIS_CHANNEL_POOL_KEY = "channels:pool" # list of JSON {token, channel_name}

# **Example `document:{id}` hash fields**
# - `id` = `{documentId}`
# - `data` = JSON encoded editor payload, "\"\"" for a blank document

# **Example `user:{id}` hash fields**
# - `id`, `first_name`, `last_name`, `email`
# - `password` = bcrypt hash
# - `bio`, `image`, `sessions_attended`
