"""Application services for InstaClone"""
