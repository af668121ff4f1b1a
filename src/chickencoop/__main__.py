# Copyright (c) 2026 The py-chickencoop Authors
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Allow running the controller as: python -m chickencoop"""

from .cli import main

if __name__ == "__main__":
    main()
