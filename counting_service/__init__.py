"""
FITCOUNT Counting Service

Real-time repetition counting for squats, push-ups and lunges.
"""
