"""
Outbound notifications.

- telegram: Bot API sink + HTML message formatting
- dispatcher: sequential, paced delivery with per-item failure isolation
"""
