"""InstaClone HTTP layer"""
