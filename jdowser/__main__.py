from jdowser.cli import main

main()
