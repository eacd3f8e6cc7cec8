# destchoice
# See full license in LICENSE.txt.
