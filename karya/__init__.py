"""
Karya marketplace backend services

This package contains the core Python services:
- store: persistent records for users, jobs and lifecycle entities
- lifecycle: application/interview state machine and engine
- projects, payments, reviews: post-hire flows
- badges: reputation tier calculation
- notifier: persisted notifications, realtime push and email
- calendar_integration: Google Calendar meetings
- reconciliation: periodic sweep of stale interviews
"""
