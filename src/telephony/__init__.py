"""Twilio voice protocol helpers: TwiML document building and phone number checks."""
