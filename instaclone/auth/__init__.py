"""Authentication: invite-gated accounts, sessions and Google OAuth"""
