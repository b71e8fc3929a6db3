"""
The ESC/VP21 wire: command values, response framing and the sequential execution queue.
"""
