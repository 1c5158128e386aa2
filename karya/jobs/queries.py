"""SQL queries for job postings."""

JOB_COLUMNS = """
    job_id, hirer_id, title, company, workplace_type, location, job_type,
    category, sub_category, notification_preference, description,
    created_at, updated_at
"""

INSERT_JOB = f"""
    INSERT INTO karya.jobs
        (hirer_id, title, company, workplace_type, location, job_type,
         category, sub_category, notification_preference, description)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
    RETURNING {JOB_COLUMNS}
"""

GET_JOB_BY_ID = f"""
    SELECT {JOB_COLUMNS}
    FROM karya.jobs
    WHERE job_id = %s
"""

# Optional filters are skipped when NULL
GET_JOBS = f"""
    SELECT {JOB_COLUMNS}
    FROM karya.jobs
    WHERE (%s::text IS NULL OR category = %s)
      AND (%s::text IS NULL OR job_type = %s)
    ORDER BY created_at DESC
    LIMIT %s OFFSET %s
"""

GET_JOBS_FOR_HIRER = f"""
    SELECT {JOB_COLUMNS}
    FROM karya.jobs
    WHERE hirer_id = %s
    ORDER BY created_at DESC
"""

UPDATE_JOB = f"""
    UPDATE karya.jobs
    SET title = %s,
        company = %s,
        workplace_type = %s,
        location = %s,
        job_type = %s,
        category = %s,
        sub_category = %s,
        notification_preference = %s,
        description = %s,
        updated_at = CURRENT_TIMESTAMP
    WHERE job_id = %s
    RETURNING {JOB_COLUMNS}
"""

DELETE_JOB = """
    DELETE FROM karya.jobs
    WHERE job_id = %s
    RETURNING job_id
"""

INSERT_SAVED_JOB = """
    INSERT INTO karya.saved_jobs (user_id, job_id)
    VALUES (%s, %s)
    RETURNING saved_job_id, user_id, job_id, created_at
"""

GET_SAVED_JOBS = """
    SELECT s.saved_job_id, s.created_at AS saved_at,
           j.job_id, j.hirer_id, j.title, j.company, j.workplace_type, j.location,
           j.job_type, j.category, j.sub_category, j.description, j.created_at
    FROM karya.saved_jobs s
    INNER JOIN karya.jobs j ON j.job_id = s.job_id
    WHERE s.user_id = %s
    ORDER BY s.created_at DESC
"""

DELETE_SAVED_JOB = """
    DELETE FROM karya.saved_jobs
    WHERE user_id = %s AND job_id = %s
    RETURNING saved_job_id
"""
