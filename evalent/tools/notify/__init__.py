"""Assessor notification: report email, Resend dispatch and decision tokens."""
