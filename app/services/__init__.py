"""서비스 패키지 — 비즈니스 로직 계층.

Service package. ServiceRequestService holds the request/upvote rules,
statistics_service the dashboard aggregation, notification_service the
detached status-change emails, captcha_service reCAPTCHA checks and
auth_service the account flows.
"""
