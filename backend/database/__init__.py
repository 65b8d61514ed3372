"""SQLAlchemy persistence for presentations"""
