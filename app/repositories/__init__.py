"""레포지토리 패키지 — 사용자, 서비스 요청, 추천 DB 쿼리.

Repository package. ServiceRequestRepository implements the
ServiceRequestStore port the service layer depends on; UserRepository
backs authentication.
"""
