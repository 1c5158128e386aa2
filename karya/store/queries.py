"""SQL queries for the entity store.

Status-changing statements are conditional: they carry the expected current
status in the WHERE clause and RETURN the row only when the write happened,
so a caller that loses a race gets no row back instead of overwriting.
"""

USER_COLUMNS = """
    user_id, first_name, last_name, email, role, skills, education, experience,
    interests, linkedin, github, profile_picture, business_details,
    is_profile_complete, google_tokens, wallet_id, badge, created_at, updated_at
"""

GET_USER = f"""
    SELECT {USER_COLUMNS}
    FROM karya.users
    WHERE user_id = %s
"""

UPDATE_USER_GOOGLE_TOKENS = """
    UPDATE karya.users
    SET google_tokens = %s, updated_at = CURRENT_TIMESTAMP
    WHERE user_id = %s
    RETURNING user_id
"""

UPDATE_USER_BADGE = """
    UPDATE karya.users
    SET badge = %s, updated_at = CURRENT_TIMESTAMP
    WHERE user_id = %s
    RETURNING user_id
"""

GET_JOB = """
    SELECT job_id, hirer_id, title, company, workplace_type, location, job_type,
           category, sub_category, notification_preference, description,
           created_at, updated_at
    FROM karya.jobs
    WHERE job_id = %s
"""

INSERT_APPLICATION = """
    INSERT INTO karya.applications (user_id, job_id, cover_letter, resume_path, status)
    VALUES (%s, %s, %s, %s, %s)
    RETURNING *
"""

GET_APPLICATION = """
    SELECT * FROM karya.applications WHERE application_id = %s
"""

FIND_APPLICATION_BY_USER_AND_JOB = """
    SELECT * FROM karya.applications WHERE user_id = %s AND job_id = %s
"""

UPDATE_APPLICATION_STATUS = """
    UPDATE karya.applications
    SET status = %s, updated_at = CURRENT_TIMESTAMP
    WHERE application_id = %s AND status = ANY(%s)
    RETURNING *
"""

LIST_APPLICATIONS_FOR_HIRER = """
    SELECT a.*, j.title AS job_title, j.company AS job_company,
           u.first_name AS applicant_first_name, u.last_name AS applicant_last_name,
           u.email AS applicant_email
    FROM karya.applications a
    INNER JOIN karya.jobs j ON j.job_id = a.job_id
    INNER JOIN karya.users u ON u.user_id = a.user_id
    WHERE j.hirer_id = %s
      AND (%s::text IS NULL OR a.status = %s)
    ORDER BY a.created_at DESC
"""

LIST_APPLICATIONS_FOR_FREELANCER = """
    SELECT a.*, j.title AS job_title, j.company AS job_company,
           j.location AS job_location, j.job_type
    FROM karya.applications a
    INNER JOIN karya.jobs j ON j.job_id = a.job_id
    WHERE a.user_id = %s
    ORDER BY a.created_at DESC
"""

INSERT_INTERVIEW = """
    INSERT INTO karya.interviews
        (application_id, scheduled_time, meet_link, google_event_id, status, created_by)
    VALUES (%s, %s, %s, %s, %s, %s)
    RETURNING *
"""

GET_INTERVIEW = """
    SELECT * FROM karya.interviews WHERE interview_id = %s
"""

FIND_INTERVIEWS_FOR_APPLICATION = """
    SELECT * FROM karya.interviews
    WHERE application_id = %s
      AND (%s::text IS NULL OR status = %s)
    ORDER BY scheduled_time DESC
"""

UPDATE_INTERVIEW_STATUS = """
    UPDATE karya.interviews
    SET status = %s,
        cancel_reason = COALESCE(%s, cancel_reason),
        updated_at = CURRENT_TIMESTAMP
    WHERE interview_id = %s AND status = %s
    RETURNING *
"""

UPDATE_INTERVIEW_SCHEDULE = """
    UPDATE karya.interviews
    SET scheduled_time = %s, updated_at = CURRENT_TIMESTAMP
    WHERE interview_id = %s AND status = %s
    RETURNING *
"""

MARK_INTERVIEW_PROJECT_CREATED = """
    UPDATE karya.interviews
    SET project_created = TRUE, updated_at = CURRENT_TIMESTAMP
    WHERE interview_id = %s AND status = 'Completed' AND project_created = FALSE
    RETURNING *
"""

CLEAR_INTERVIEW_PROJECT_CREATED = """
    UPDATE karya.interviews
    SET project_created = FALSE, updated_at = CURRENT_TIMESTAMP
    WHERE interview_id = %s
    RETURNING *
"""

FIND_STALE_INTERVIEWS = """
    SELECT * FROM karya.interviews
    WHERE status = 'Scheduled' AND scheduled_time <= %s
    ORDER BY scheduled_time
    LIMIT %s
"""

LIST_INTERVIEWS_FOR_USER = """
    SELECT i.*, a.user_id AS applicant_id, j.title AS job_title, j.company AS job_company
    FROM karya.interviews i
    INNER JOIN karya.applications a ON a.application_id = i.application_id
    INNER JOIN karya.jobs j ON j.job_id = a.job_id
    WHERE a.user_id = %s OR i.created_by = %s
    ORDER BY i.scheduled_time DESC
"""

INSERT_PROJECT = """
    INSERT INTO karya.projects
        (title, description, hirer_id, freelancer_id, application_id, interview_id,
         status, duration, deadline, payment)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
    RETURNING *
"""

GET_PROJECT = """
    SELECT * FROM karya.projects WHERE project_id = %s
"""

LIST_PROJECTS = """
    SELECT * FROM karya.projects
    WHERE (%s::bigint IS NULL OR hirer_id = %s)
      AND (%s::bigint IS NULL OR freelancer_id = %s)
      AND (%s::text IS NULL OR status = %s)
    ORDER BY created_at DESC
"""

COUNT_PROJECTS = """
    SELECT COUNT(*) FROM karya.projects
    WHERE (%s::bigint IS NULL OR hirer_id = %s)
      AND (%s::bigint IS NULL OR freelancer_id = %s)
"""

UPDATE_PROJECT_STATUS = """
    UPDATE karya.projects
    SET status = %s, updated_at = CURRENT_TIMESTAMP
    WHERE project_id = %s AND status = %s
    RETURNING *
"""

LIST_TASKS_FOR_PROJECTS = """
    SELECT * FROM karya.project_tasks
    WHERE project_id = ANY(%s)
    ORDER BY project_id, created_at, task_id
"""

INSERT_TASK = """
    INSERT INTO karya.project_tasks (project_id, title, description, status, deadline, files)
    VALUES (%s, %s, %s, %s, %s, %s)
    RETURNING *
"""

UPDATE_TASK_STATUS = """
    UPDATE karya.project_tasks
    SET completed_at = CASE WHEN status = %s THEN COALESCE(completed_at, %s) ELSE %s END,
        status = %s
    WHERE project_id = %s AND task_id = %s
    RETURNING *
"""

INSERT_PAYMENT = """
    INSERT INTO karya.payments
        (hirer_id, freelancer_id, project_id, amount, currency, provider,
         transaction_id, wallet_id, status)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
    RETURNING *
"""

GET_PAYMENT = """
    SELECT * FROM karya.payments WHERE payment_id = %s
"""

FIND_PAYMENT_BY_TRANSACTION = """
    SELECT * FROM karya.payments WHERE provider = %s AND transaction_id = %s
"""

UPDATE_PAYMENT_TRANSACTION = """
    UPDATE karya.payments
    SET transaction_id = %s, updated_at = CURRENT_TIMESTAMP
    WHERE payment_id = %s AND status = 'pending'
    RETURNING *
"""

SETTLE_PAYMENT = """
    UPDATE karya.payments
    SET status = %s,
        transaction_id = COALESCE(%s, transaction_id),
        updated_at = CURRENT_TIMESTAMP
    WHERE payment_id = %s AND status = 'pending'
    RETURNING *
"""

LIST_PAYMENTS = """
    SELECT p.*, pr.title AS project_title, pr.deadline AS project_deadline
    FROM karya.payments p
    INNER JOIN karya.projects pr ON pr.project_id = p.project_id
    WHERE (%s::bigint IS NULL OR p.hirer_id = %s)
      AND (%s::bigint IS NULL OR p.freelancer_id = %s)
      AND (%s::bigint IS NULL OR p.project_id = %s)
      AND (%s::text IS NULL OR p.status = %s)
    ORDER BY p.created_at DESC
"""

INSERT_REVIEW = """
    INSERT INTO karya.reviews
        (project_id, payment_id, reviewer_id, reviewed_user_id, rating, comment)
    VALUES (%s, %s, %s, %s, %s, %s)
    RETURNING *
"""

GET_REVIEW = """
    SELECT * FROM karya.reviews WHERE review_id = %s
"""

FIND_REVIEW = """
    SELECT * FROM karya.reviews
    WHERE project_id = %s AND reviewer_id = %s AND reviewed_user_id = %s
"""

DELETE_REVIEW = """
    DELETE FROM karya.reviews WHERE review_id = %s RETURNING review_id
"""

LIST_REVIEWS_FOR_USER = """
    SELECT r.*, u.first_name AS reviewer_first_name, u.last_name AS reviewer_last_name,
           u.role AS reviewer_role, p.title AS project_title
    FROM karya.reviews r
    INNER JOIN karya.users u ON u.user_id = r.reviewer_id
    INNER JOIN karya.projects p ON p.project_id = r.project_id
    WHERE r.reviewed_user_id = %s
    ORDER BY r.created_at DESC
"""

INSERT_NOTIFICATION = """
    INSERT INTO karya.notifications
        (recipient_id, message, event, application_id, interview_id, project_id, payment_id)
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    RETURNING *
"""

GET_NOTIFICATION = """
    SELECT * FROM karya.notifications WHERE notification_id = %s
"""

LIST_NOTIFICATIONS = """
    SELECT * FROM karya.notifications
    WHERE recipient_id = %s AND is_read = %s
    ORDER BY created_at DESC
    LIMIT %s
"""

MARK_NOTIFICATION_READ = """
    UPDATE karya.notifications
    SET is_read = TRUE
    WHERE notification_id = %s AND recipient_id = %s
    RETURNING *
"""
