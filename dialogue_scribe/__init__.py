"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Client-side doctor/patient dialogue transcription.
"""
