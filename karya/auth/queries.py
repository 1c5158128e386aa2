"""SQL queries for authentication and user profiles."""

from karya.store.queries import USER_COLUMNS

# Query to get user by email, including the password hash for login
GET_USER_BY_EMAIL = f"""
    SELECT {USER_COLUMNS}, password_hash, last_login
    FROM karya.users
    WHERE email = %s
"""

GET_USER_BY_ID = f"""
    SELECT {USER_COLUMNS}, last_login
    FROM karya.users
    WHERE user_id = %s
"""

INSERT_USER = """
    INSERT INTO karya.users (first_name, last_name, email, password_hash, role, created_at, updated_at)
    VALUES (%s, %s, %s, %s, %s, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
    RETURNING user_id
"""

UPDATE_USER_LAST_LOGIN = """
    UPDATE karya.users
    SET last_login = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
    WHERE user_id = %s
"""

# Absent fields keep their current value
UPDATE_USER_PROFILE = """
    UPDATE karya.users
    SET first_name = COALESCE(%s, first_name),
        last_name = COALESCE(%s, last_name),
        skills = COALESCE(%s, skills),
        education = COALESCE(%s, education),
        experience = COALESCE(%s, experience),
        interests = COALESCE(%s, interests),
        linkedin = COALESCE(%s, linkedin),
        github = COALESCE(%s, github),
        profile_picture = COALESCE(%s, profile_picture),
        business_details = COALESCE(%s, business_details),
        is_profile_complete = %s,
        updated_at = CURRENT_TIMESTAMP
    WHERE user_id = %s
    RETURNING user_id
"""

UPDATE_USER_WALLET_ID = """
    UPDATE karya.users
    SET wallet_id = %s, updated_at = CURRENT_TIMESTAMP
    WHERE user_id = %s
    RETURNING user_id
"""
