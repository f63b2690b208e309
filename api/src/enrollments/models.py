"""Course enrollment lookup table.

Rows are written by the purchase flow once a payment is verified; this
service only reads them to answer "has this user bought this course?".
"""

# Partition key: user_id - "which courses does this user own?"
COURSE_ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_enrollments (
    user_id TEXT,
    course_id TEXT,
    enrolled_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

ENROLLMENTS_TABLES_CQL = [
    COURSE_ENROLLMENTS_TABLE_CQL,
]
