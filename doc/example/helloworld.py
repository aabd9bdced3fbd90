import m2handler


class HelloWorld(m2handler.Handler):

    def handle(self, request):

        response = request.response()
        response.status = 200
        response.content_type = 'text/plain'
        response.puts('Hello, world, from %s!' % (request.path))
        return response


if __name__ == '__main__':
    m2handler.logs.setup_logging()
    HelloWorld.run_app('helloworld-handler')
